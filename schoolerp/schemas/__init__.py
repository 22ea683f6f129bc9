"""
Request schemas package initialization
"""

from schoolerp.schemas.base import ma, BaseSchema, load

__all__ = ['ma', 'BaseSchema', 'load']
