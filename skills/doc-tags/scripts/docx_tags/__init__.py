"""Tag substitution pipeline for Word documents, composed from focused modules."""
