import sys

from formpdf.cli import main

sys.exit(main())
