import sys

from ksef.cli import main

sys.exit(main())
