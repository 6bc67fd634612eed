"""Currency conversion page renderer."""
