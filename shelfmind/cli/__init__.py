"""Command-line tools for shelfmind.

- ``python -m shelfmind.cli vectorize <id>`` -- chunk and embed a book
- ``python -m shelfmind.cli status <id>`` -- show vectorization progress
- ``python -m shelfmind.cli search <id> <query>`` -- ranked search
- ``python -m shelfmind.cli purge <id>`` -- delete stored chunks
- ``python -m shelfmind.cli documents`` -- list vectorized books

Uses argparse; heavy imports are deferred inside command handlers.
"""
