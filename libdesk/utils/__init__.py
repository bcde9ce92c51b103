"""Library Desk - CLI utilities

- CLI preferences and acting ids (cli_config.py)
- Output-mode aware printing (ui_helpers.py)
- Input validation for new catalog entries (validators.py)
"""
