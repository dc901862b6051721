"""Real-time infrastructure — presence, private channels, WebSocket delivery.

Learn: Events flow through three pieces:
1. ConnectionRegistry — identity → live connection ("who is online")
2. ChannelSubscriptions — private channel id → subscribed connections
3. ConnectionHub — connection → outbound queue → WebSocket

The lifecycle manager (ChatRelay) is the only thing that mutates them,
one connection event at a time.
"""
