"""
Layer B: Coloring and Role Management.
"""

from .coloring import ColoringEngine, smallest_free_color
from .role_manager import RoleManager

__all__ = ['ColoringEngine', 'smallest_free_color', 'RoleManager']
