import sys

from traffic_collector.main import main

sys.exit(main())
