"""``python -m callgraph_core`` — see :mod:`callgraph_core.cli`."""

import sys

from callgraph_core.cli import main

sys.exit(main())
