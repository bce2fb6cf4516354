from slowapi import Limiter
from slowapi.util import get_remote_address

from lms_forum.config import RATELIMIT_ENABLED

limiter = Limiter(key_func=get_remote_address, enabled=RATELIMIT_ENABLED)
