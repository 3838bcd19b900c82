import sys

from taskbridge.cli import main

sys.exit(main())
