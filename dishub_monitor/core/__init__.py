"""Infrastructure shared by every layer: settings, sessions, auth and errors."""
