import sys

from mrf_loader.cli import main

sys.exit(main())
