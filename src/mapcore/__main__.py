import sys

from mapcore.cli import main

sys.exit(main())
