import sys

from framestats.run import main

sys.exit(main())
