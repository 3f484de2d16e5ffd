"""Git operations module.

Usage:
    from rd.git import Repository

    repo = Repository(Path("/path/to/game"))
    tags = repo.tags_by_version()
"""

from rd.git.repository import GitError, Repository

__all__ = ["GitError", "Repository"]
