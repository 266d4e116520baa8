class PersistenceError(Exception):
    """Raised when the relational backend fails to prepare or execute a statement."""
