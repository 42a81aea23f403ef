"""Identity: portal users and their login sessions."""
