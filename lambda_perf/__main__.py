import sys

from lambda_perf.cli import main

sys.exit(main())
