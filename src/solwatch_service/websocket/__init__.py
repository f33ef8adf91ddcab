from .pumpfun_ws import ConnectionManager

__all__ = ["ConnectionManager"]
