from .service import OrderDesk

__all__ = ["OrderDesk"]
