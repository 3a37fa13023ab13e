"""Application logging and the upload outcome log."""
