import sys

from procmit.cli import main

sys.exit(main())
