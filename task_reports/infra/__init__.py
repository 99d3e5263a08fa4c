"""Infrastructure adapters: database, email, storage, task queue and logging."""
