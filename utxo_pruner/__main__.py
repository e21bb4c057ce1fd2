"""Allow ``python -m utxo_pruner``."""

import sys

from utxo_pruner.cli import main

sys.exit(main())
