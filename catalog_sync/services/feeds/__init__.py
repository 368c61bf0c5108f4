from .locator import locate_feed_files
from .parser import parse_incoming_feed, parse_delisted_feed
from .validator import validate, filter_valid
