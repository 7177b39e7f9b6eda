"""Text-generation backends.

Both backends expose ``generate_response(prompt, **parameters) -> str``; the
heavy imports (torch, transformers, openai) happen only when a backend module
is loaded.
"""
