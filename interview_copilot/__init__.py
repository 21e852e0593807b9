"""Interview Copilot: live transcription with on-demand answer drafts."""

__version__ = "0.1.0"
