import sys

from htdb.cli import main

sys.exit(main())
