"""C11 front-end pieces: tokenizer, literal decoding, Unicode helpers, diagnostics and types."""

__version__ = "0.1.0"

__all__ = ["unicode", "source", "typesys", "literals", "tokenize"]