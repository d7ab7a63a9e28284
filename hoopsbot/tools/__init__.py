"""
Data Operations Layer.

The registry of NBA data operations the LLM can call, and the ESPN client
that backs them.
"""
