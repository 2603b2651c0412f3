import sys

from xiangxinai.cli import main

sys.exit(main())
