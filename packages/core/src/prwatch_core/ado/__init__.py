"""Azure DevOps REST access: client, PR queries, identity, and the poll fetcher."""
