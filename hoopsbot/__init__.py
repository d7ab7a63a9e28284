"""
HoopsBot - LLM-powered NBA statistics assistant.

This package answers natural-language basketball questions by letting an LLM
pick which ESPN data operations to call, then synthesizing the results into a
conversational answer.
"""

__version__ = "0.1.0"
