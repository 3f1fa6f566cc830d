import sys

from pipescan.cli import main

sys.exit(main())
