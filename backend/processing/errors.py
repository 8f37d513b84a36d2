class AcquisitionError(Exception):
    """Camera or detector could not be acquired. Fatal to the current session."""


class CameraUnavailableError(AcquisitionError):
    pass


class DetectorLoadError(AcquisitionError):
    pass


class PersistenceError(Exception):
    """Saving the captured image failed. The image is kept for a retry."""
