class PipelineError(Exception):
    """Base for failures a stage worker raises and the orchestrator records."""


class JobDataError(PipelineError):
    pass


class ContentSourceError(PipelineError):
    pass


class FrameFetchError(PipelineError):
    pass


class TranscodeError(PipelineError):
    pass


class TranscodeTimeout(TranscodeError):
    pass


class StorageError(PipelineError):
    pass


class PlatformError(PipelineError):
    pass


class PlaylistError(PipelineError):
    pass
