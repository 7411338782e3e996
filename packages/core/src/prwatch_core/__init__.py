"""Azure DevOps pull request watcher: fetch, diff, and track PR state between polls."""
