"""Route package marker.

Keep this module import-light to avoid circular imports when service code
imports a specific route module (for shared helpers).
"""

__all__ = [
    "claims",
    "enquiries",
    "health",
    "stream",
]
