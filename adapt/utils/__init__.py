from .matrix import cofactor, determinant, inverse

__all__ = ['cofactor', 'determinant', 'inverse']
