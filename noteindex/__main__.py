import sys

from noteindex.cli import main

sys.exit(main())
