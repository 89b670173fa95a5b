"""HTTP types — immutable Request, chainable Response, header/query/form parsing."""
