"""MeetingMind - live meeting transcription with AI questions, insights and summaries."""

__version__ = "0.1.0"
