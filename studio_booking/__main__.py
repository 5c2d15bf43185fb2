import sys

from studio_booking.cli import main

sys.exit(main())
