import sys

from precedent_crawler.cli import main

sys.exit(main())
