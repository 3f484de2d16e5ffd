"""Exit codes for CLI commands.

The numeric values are part of the CLI contract and should remain stable:
- 0: Success
- 1: User error (bad version string, unknown platform)
- 2: Environment error (no git access, stateless host, bad config)
- 3: Git error (fetch, tag or push failed)
- 4: Deploy error (publish program failed, timed out or never started)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    DEPLOY_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
