"""
Player package for the retail signage display.
Contains modules for pairing, manifest sync, heartbeat reporting,
the player state machine and playback sequencing.
"""
