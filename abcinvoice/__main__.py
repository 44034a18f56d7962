import sys

from abcinvoice.app import main

sys.exit(main())
