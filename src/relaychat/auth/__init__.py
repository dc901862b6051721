"""Identity verification for the real-time channel.

Learn: The relay never checks passwords. The login service (the external
directory) issues a signed identity token; the relay only verifies that
the identity a connection declares is the one the token was issued for.
"""
