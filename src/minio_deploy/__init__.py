"""Mirror a local static build directory into an S3-compatible bucket."""

__version__ = "0.1.0"
