class ConversionError(Exception):
    """Base class for every failure the conversion core raises on purpose."""


class JobNotFound(ConversionError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"job not found: {job_id}")
        self.job_id = job_id


class UnsupportedConversion(ConversionError):
    def __init__(self, conversion_type: str) -> None:
        super().__init__(f"Unsupported conversion type: {conversion_type}")
        self.conversion_type = conversion_type


class JobStateConflict(ConversionError):
    """The job is in a state that accepts no conversion request."""


class ArtifactMissing(ConversionError):
    """An input or output artifact referenced by a job is not on disk."""


class UploadTooLarge(ConversionError):
    pass


class RenderingFailed(ConversionError):
    pass


class ArchivingFailed(ConversionError):
    pass


class NoExtractableText(ConversionError):
    pass


class NoExtractableImages(ConversionError):
    pass


class UpstreamServiceFailed(ConversionError):
    """The hosted text-completion service failed or answered with nothing."""
