"""Exception types raised by the fusion pipeline.

Only hard failures are exceptions. Soft conditions (waiting for an IMU
sample, warm-up, deferred ingestion) are reported through
:class:`vio_fusion.fusion.driver.FusionStatus` on the returned result.
"""


class FusionError(Exception):
    """Base class for all errors raised by vio_fusion."""


class ConfigurationError(FusionError):
    """Estimator configuration path is empty, missing or unreadable.

    The driver absorbs this error: the call produces no pose and the
    initialization is retried on the next eligible call.
    """


class UnsupportedFormatError(FusionError):
    """Image pixel layout cannot be converted to 8-bit grayscale.

    This indicates an integration defect, not a runtime condition, so the
    driver never catches it.
    """
