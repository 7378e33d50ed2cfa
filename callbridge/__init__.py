"""callbridge: bridges client call audio to a Gemini Live speech session."""

__version__ = "0.1.0"
