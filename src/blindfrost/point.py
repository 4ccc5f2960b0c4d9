"""
This module defines the Point class, the group element of blind FROST. Points
live on secp256k1 and are kept in affine coordinates, with the point at
infinity as the group identity.

Besides the group law (addition, negation, doubling and double-and-add scalar
multiplication) the class handles SEC 1 compressed encoding, which is the only
encoding fed into transcripts and signatures.
"""

from __future__ import annotations
from typing import Optional, Union
from .constants import P, Q, G_x, G_y, POINT_SIZE


class Point:
    """Class representing an elliptic curve point."""

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None):
        """
        Initialize a point on secp256k1.

        Parameters:
        x (Optional[int], optional): The x-coordinate of the point.
            Defaults to None, representing the point at infinity.
        y (Optional[int], optional): The y-coordinate of the point.
            Defaults to None, also representing the point at infinity.

        No curve membership check is made here; use is_on_curve() on points
        built from untrusted coordinates.
        """

        self.x = x
        self.y = y

    @classmethod
    def sec_deserialize(cls, data: Union[bytes, str]) -> Point:
        """
        Deserialize a SEC 1 compressed point.

        Parameters:
        data (Union[bytes, str]): 33 bytes, or their hexadecimal encoding.

        Returns:
        Point: The decoded point, guaranteed to be on the curve.

        Raises:
        ValueError: If the input is not valid hex, has the wrong length or
        prefix, or the x-coordinate is not on the curve.
        """
        try:
            raw = bytes.fromhex(data) if isinstance(data, str) else bytes(data)
        except ValueError as e:
            raise ValueError("Invalid hex input for a compressed point.") from e

        if len(raw) != POINT_SIZE:
            raise ValueError(
                f"Input must be exactly {POINT_SIZE} bytes long for SEC 1 compressed format."
            )
        if raw[0] not in (2, 3):
            raise ValueError("Compressed point prefix must be 0x02 or 0x03.")

        x = int.from_bytes(raw[1:], "big")
        if x >= P:
            raise ValueError("The x-coordinate is not a field element.")
        y_squared = (pow(x, 3, P) + 7) % P
        y = pow(y_squared, (P + 1) // 4, P)
        if (y * y) % P != y_squared:
            raise ValueError("The x-coordinate is not on the curve.")

        if y % 2 != raw[0] - 2:
            y = P - y

        return cls(x, y)

    def sec_serialize(self) -> bytes:
        """
        Serialize the point to its SEC 1 compressed format.

        Returns:
        bytes: A parity prefix followed by the 32-byte big-endian x-coordinate.

        Raises:
        ValueError: If the point is at infinity.
        """
        if self.x is None or self.y is None:
            raise ValueError("Cannot serialize the point at infinity.")

        prefix = b"\x02" if self.y % 2 == 0 else b"\x03"
        return prefix + self.x.to_bytes(32, "big")

    def is_zero(self) -> bool:
        """
        Check if the point is the identity element (point at infinity).
        """
        return self.x is None or self.y is None

    def is_on_curve(self) -> bool:
        """
        Check that the point satisfies y^2 = x^3 + 7 over the base field.

        The point at infinity is considered on the curve.
        """
        if self.x is None or self.y is None:
            return True
        if not (0 <= self.x < P and 0 <= self.y < P):
            return False
        return (self.y * self.y - pow(self.x, 3, P) - 7) % P == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __neg__(self) -> Point:
        """
        Negate the point, reflecting it over the x-axis. The point at
        infinity is its own negation.
        """
        if self.x is None or self.y is None:
            return self

        return self.__class__(self.x, (P - self.y) % P)

    def _dbl(self) -> Point:
        """
        Double the point. A point at infinity, or a point of order 2, doubles
        to the point at infinity.
        """
        if self.x is None or self.y is None or self.y == 0:
            return self.__class__()

        x = self.x
        y = self.y
        s = (3 * x * x * pow(2 * y, P - 2, P)) % P
        sum_x = (s * s - 2 * x) % P
        sum_y = (s * (x - sum_x) - y) % P

        return self.__class__(sum_x, sum_y)

    def __add__(self, other: Point) -> Point:
        """
        Add two points on the curve.

        Parameters:
        other (Point): Another point to add to this point.

        Returns:
        Point: The sum of the two points as a new Point object.

        Raises:
        ValueError: If other is not a Point.
        """
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        if self == other:
            return self._dbl()
        if self.x is None or self.y is None:
            return other
        if other.x is None or other.y is None:
            return self
        if self.x == other.x and self.y != other.y:
            return self.__class__()  # Point at infinity
        s = ((other.y - self.y) * pow(other.x - self.x, P - 2, P)) % P
        sum_x = (s * s - self.x - other.x) % P
        sum_y = (s * (self.x - sum_x) - self.y) % P

        return self.__class__(sum_x, sum_y)

    def __sub__(self, other: Point) -> Point:
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        return self + -other

    def __rmul__(self, scalar: int) -> Point:
        """
        Multiply this point by an integer scalar using double-and-add, with
        the scalar reduced modulo the group order Q.

        Parameters:
        scalar (int): The scalar to multiply this point by.

        Returns:
        Point: The result of the scalar multiplication.

        Raises:
        ValueError: If the scalar is not an integer.
        """
        if not isinstance(scalar, int) or isinstance(scalar, bool):
            raise ValueError("The scalar must be an integer")

        scalar = scalar % Q

        p = self
        r = self.__class__()

        while scalar:
            if scalar & 1:
                r = r + p
            p = p._dbl()
            scalar >>= 1

        return r

    def __mul__(self, scalar: int) -> Point:
        return self.__rmul__(scalar)

    def __str__(self) -> str:
        if self.is_zero():
            return "0"
        return self.sec_serialize().hex()

    def __repr__(self) -> str:
        if self.is_zero():
            return f"{self.__class__.__name__}(x=None, y=None)"
        return f"{self.__class__.__name__}(x={self.x}, y={self.y})"


# The generator point G
G: Point = Point(G_x, G_y)
