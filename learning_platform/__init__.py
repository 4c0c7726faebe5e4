"""Sri Lankan Learning Platform API."""
