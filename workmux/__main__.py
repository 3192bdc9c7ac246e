import sys

from workmux.cli.main import main

sys.exit(main())
