"""
counter_sdk.cli
===============

The `counter-sdk` command line (see :mod:`counter_sdk.cli.main`). Nothing is
imported here so that `import counter_sdk` does not pull in typer.
"""
