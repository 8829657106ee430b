"""Migration step implementations over a psycopg2 cursor."""
