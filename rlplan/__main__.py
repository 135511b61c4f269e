import sys

from rlplan.cli import main

sys.exit(main())
