"""
VideoTube accounts services.

Core Services:
- account_service: registration, sessions, password and media updates, read models
- token_issuer: access / refresh JWT signing and verification
- media_relay: staging of uploads and relaying them to Cloudinary
- results: the success-or-typed-error value every account operation returns
"""
