"""RelayChat — two-party private chat relay.

The real-time connection, presence and routing layer that sits in front of
an external user/contact directory: who is online, which private channel a
pair of users shares, and delivering each message to exactly those two.
"""

__version__ = "0.1.0"
