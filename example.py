"""Minimal Folio application that ships with the project.

Run ``uv sync`` once, then ``uv run example.py`` to boot the demo platform on
``localhost:3000``. Tenant pages answer on ``alice.localhost:3000`` and
``bob.localhost:3000``; anything else under the primary domain is rewritten and
answered with a 404 by the profile stage.

Override ``FOLIO_PRIMARY_DOMAIN`` to match your environment and set
``FOLIO_DEBUG=1`` to see the ``x-folio-*`` routing headers on tenant responses.
"""

from __future__ import annotations

import logging
import os

from folio.demo import create_app
from folio.server import ServerConfig, run


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    run(
        app,
        ServerConfig(
            host=os.getenv("FOLIO_HOST", "127.0.0.1"),
            port=int(os.getenv("FOLIO_PORT", "3000")),
        ),
    )


if __name__ == "__main__":
    main()
