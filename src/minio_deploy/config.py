"""
Centralized defaults for the deploy tool.

Edit these constants to set project defaults. CLI flags, environment
variables and the `.env` file override these values at runtime.
"""

# Local build output mirrored when neither `--source-dir` nor env `SOURCE_DIR` is set.
DEFAULT_SOURCE_DIR: str = "dist"

# Configuration file read from the working directory (and written by `init-env`).
DEFAULT_ENV_FILE: str = ".env"

# Alias registered with `mc alias set` when using the mc transport.
DEFAULT_ALIAS: str = "minio"

# MinIO only answers path-style requests ("https://endpoint/bucket/key") unless
# virtual-host style has been configured on the server.
DEFAULT_USE_PATH_STYLE: bool = True

# Number of parallel uploads (1 = sequential).
DEFAULT_CONCURRENCY: int = 1

# S3 DeleteObjects accepts at most 1000 keys per request.
DELETE_BATCH_SIZE: int = 1000

# Port MinIO serves its web console on; the S3 API usually lives on 9000.
CONSOLE_PORT: int = 9001
