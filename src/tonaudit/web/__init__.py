"""Web API for tonaudit (optional ``web`` extra)."""
