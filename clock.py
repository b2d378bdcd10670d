from datetime import datetime
import pytz

# Business clock of the factory
IST = pytz.timezone('Asia/Kolkata')


def ist_now():
    """Current IST time as a naive datetime, the way timestamps are stored."""
    return datetime.now(IST).replace(tzinfo=None)


def ist_today():
    return ist_now().date()
