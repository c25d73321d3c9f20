class ThreadlinkError(Exception):
    pass


# --- Extraction ---

class ExtractionError(ThreadlinkError):
    """A bounded extraction step failed. The resolver degrades to a minimal card."""
    pass

class NavigationTimeout(ExtractionError):
    pass

class IdleTimeout(ExtractionError):
    pass

class SelectorTimeout(ExtractionError):
    pass

class ExtractorStateError(ThreadlinkError):
    """parse() called while the browser session is not started."""
    pass


# --- Relay ---

class MalformedTokenError(ThreadlinkError):
    pass

class UpstreamError(ThreadlinkError):
    pass

class UpstreamHeadFailure(UpstreamError):
    pass

class UpstreamGetFailure(UpstreamError):
    pass
