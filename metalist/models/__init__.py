# Import every model so Alembic sees the full metadata.

from metalist.models.user import User  # noqa: F401
from metalist.models.profile import Profile  # noqa: F401
from metalist.models.band import Band, BandMember  # noqa: F401
from metalist.models.release import Release, Track  # noqa: F401
from metalist.models.rating import Rating, Review  # noqa: F401
from metalist.models.follow import Follow  # noqa: F401
from metalist.models.notification import Notification  # noqa: F401
from metalist.models.payment import ReleasePayment  # noqa: F401
from metalist.models.subscription import Subscription  # noqa: F401
from metalist.models.demo import Demo  # noqa: F401
