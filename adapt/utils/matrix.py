"""
Small dense-matrix helpers by cofactor expansion.

Meant for the few-by-few systems example callers invert (e.g. the inverse
covariance of a short recursive least squares filter); exact on integer-valued
inputs with unit determinant.
"""

from typing import List, Sequence

Matrix = List[List[float]]


def _minor(matrix: Sequence[Sequence[float]], row: int, column: int) -> Matrix:
    return [
        [value for c, value in enumerate(r) if c != column]
        for i, r in enumerate(matrix) if i != row
    ]


def _check_square(matrix: Sequence[Sequence[float]]) -> int:
    n = len(matrix)
    if n == 0 or any(len(row) != n for row in matrix):
        raise ValueError("expected a non-empty square matrix")
    return n


def determinant(matrix: Sequence[Sequence[float]]) -> float:
    """Determinant by Laplace expansion along the first row."""
    n = _check_square(matrix)
    if n == 1:
        return float(matrix[0][0])
    total = 0.0
    sign = 1.0
    for column, value in enumerate(matrix[0]):
        total += value * sign * determinant(_minor(matrix, 0, column))
        sign = -sign
    return total


def cofactor(matrix: Sequence[Sequence[float]]) -> Matrix:
    """Matrix of cofactors."""
    n = _check_square(matrix)
    if n == 1:
        return [[1.0]]
    return [
        [determinant(_minor(matrix, r, c)) * (1.0 if (r + c) % 2 == 0 else -1.0) for c in range(n)]
        for r in range(n)
    ]


def inverse(matrix: Sequence[Sequence[float]]) -> Matrix:
    """
    Inverse as the transposed cofactor matrix over the determinant.

    Raises:
        ValueError: If the matrix is not square or is singular.
    """
    det = determinant(matrix)
    if det == 0.0:
        raise ValueError("matrix is singular")
    multiplier = 1.0 / det
    cofactors = cofactor(matrix)
    n = len(matrix)
    return [[cofactors[r][c] * multiplier for r in range(n)] for c in range(n)]
