"""notecritic — streaming protocol normalization and turn orchestration for LLM vendors."""

__version__ = "0.3.0"
