# zos_connector/__init__.py
"""Submit and monitor z/OS batch jobs over FTP, and track SCLM revisions."""

__version__ = "0.1.0"
