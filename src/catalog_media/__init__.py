"""Image transcoding and presigned-URL uploads for the catalog admin."""

__version__ = "0.1.0"
