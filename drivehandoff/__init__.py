"""
drivehandoff - transfer ownership of a Google Drive file to another user.
"""

__version__ = "1.0.0"
__author__ = "drivehandoff contributors"
__description__ = "Two-step Google Drive ownership transfer from the command line"
