"""
Utility package exports
"""

from pinkeeper.utils.helpers import archive_folder_name, format_transcript, sanitize_filename, to_local

__all__ = ["archive_folder_name", "format_transcript", "sanitize_filename", "to_local"]
