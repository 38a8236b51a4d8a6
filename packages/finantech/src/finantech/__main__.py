import sys

from finantech.cli import main

sys.exit(main())
