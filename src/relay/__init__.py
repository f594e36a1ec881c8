"""Bidirectional audio relay between a Twilio media stream and a realtime speech AI.

Twilio -> WS /media-stream -> CallRelay -> AIBridge -> WS realtime AI service, and back.
"""
