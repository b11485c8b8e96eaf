"""Composite cursor pagination.

Modules:
    cursor: the cursor model and its opaque wire format.
    validation: checks which cursor fields an entity may carry.
    offset: next-page decisions for offset pagination.
    collection: pagination of members nested in a paginated parent collection.
    batch: fills pages with the children of batches of parents.
"""
