class SessionKeeperError(Exception):
    pass


class ConfigurationIncomplete(SessionKeeperError):
    pass


class SourceUnavailable(SessionKeeperError):
    """A session source could not authenticate or could not find the session."""


class TransportFailure(SourceUnavailable):
    """Network or storage protocol failure, as opposed to a missing session."""


class PublishFailure(SessionKeeperError):
    pass


class CriticalStartupFailure(SessionKeeperError):
    pass
