import sys

from reindexer.cli import main

sys.exit(main())
