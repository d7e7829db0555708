"""
Exceptions raised by the gallery core and mapped to HTTP responses by the web layer.
"""


class GalleryError(Exception):
    status_code = 500


class BadPath(GalleryError):
    """Directory or file name resolves outside the images root, or is not there."""
    status_code = 400


class NotFound(GalleryError):
    status_code = 404


class ScanFailure(GalleryError):
    """The filesystem refused to list a directory (permissions, I/O error)."""
    status_code = 500


class UploadRejected(GalleryError):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
