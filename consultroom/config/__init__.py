"""Configuration package for consultroom.

Holds the optional `client_config.json`, merged over the built-in defaults by
`consultroom.utils.config_loader.ConfigManager`. Sections:

- logging: level, format
- server: url (client), host and port (relay server)
- session: structured_note_prefix, min_send_interval
"""
