"""Domain models and entities.

Why:
- Pure, strict data structures (Pydantic v2) and the error taxonomy live here.
- The domain knows nothing about mDNS, AirPlay, yt-dlp or the CLI.
"""
