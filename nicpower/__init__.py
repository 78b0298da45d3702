"""Read-only inventory of network adapter power-saving features."""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
