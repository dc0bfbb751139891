import sys

from globpathfinder.cli import main

sys.exit(main())
