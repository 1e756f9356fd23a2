"""spage: database bootstrap for the spage application."""
