import sys

from frontail.server import main

sys.exit(main())
