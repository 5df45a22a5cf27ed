# -*- coding: utf-8 -*-
"""
Realtime module
"""

from .hub import ChannelFilter, RealtimeHub, hub
from .websocket import RealtimeManager, realtime_manager

__all__ = [
    'ChannelFilter',
    'RealtimeHub',
    'RealtimeManager',
    'hub',
    'realtime_manager',
]
