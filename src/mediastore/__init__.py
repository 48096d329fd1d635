"""mediastore: verifiable uploads to R2, Firebase Storage and Google Drive."""

__version__ = "0.1.0"
