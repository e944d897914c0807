from .bootstrap import bootstrap_builder

__all__ = ["bootstrap_builder"]
