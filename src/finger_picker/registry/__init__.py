"""Touch tracking - active contact points and membership notifications."""

from .touch_registry import Touch, TouchRegistry, RegistryListener

__all__ = ['Touch', 'TouchRegistry', 'RegistryListener']
