"""Hook layer - entry points invoked by the assistant runtime, one event per process."""
