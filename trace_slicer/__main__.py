"""``python -m trace_slicer`` → :func:`trace_slicer.cli.main`."""

import sys

from trace_slicer.cli import main

sys.exit(main())
