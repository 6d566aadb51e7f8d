# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Entry point for ``python -m sigv4client``."""

from sigv4client.cli import cli


if __name__ == "__main__":
    cli()
