"""DriveTree: lazy folder tree over Google Drive."""

__version__ = "0.1.0"
