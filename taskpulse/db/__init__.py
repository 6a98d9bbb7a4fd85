"""TaskPulse DB — SQLAlchemy tables and the SQL-backed record reader."""
