"""rd - release deck: tag, note and publish one game build from one repository."""

__version__ = "0.3.0"
