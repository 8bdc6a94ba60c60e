"""Event models and recurrence arithmetic."""
