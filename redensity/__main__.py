import sys

from redensity.cli import main

sys.exit(main())
