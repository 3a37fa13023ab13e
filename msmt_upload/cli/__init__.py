"""Command line interface (``python -m msmt_upload.cli`` / ``msmt-upload``)."""
