"""Error codes for CLI exit status.

Each failure class of a release run maps to one stable process exit code so
CI pipelines can tell a bad tag set from a broken build or a failed upload.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable.
    - 0: Success
    - 1: User error (ambiguous version tags, bad arguments)
    - 2: Environment error (config, git or docker unavailable)
    - 3: Build error (compilation failed inside the build environment)
    - 4: Publish error (extraction or upload failed)
    - 5: Dispatch error (a build job was not accepted)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    PUBLISH_ERROR = 4
    DISPATCH_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
