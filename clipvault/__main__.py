import sys

from clipvault.cli import main

sys.exit(main())
