import sys

from composerr.cli import main

sys.exit(main())
