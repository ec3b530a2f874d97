"""Node registry, selection and batch tracking for geo batch placement."""
