from .money import quantize_money

__all__ = ["quantize_money"]
