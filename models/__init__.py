from .thing import Thing, ThingCategory, ThingSource, RawItem, PROVIDER_IDENTITY_FIELDS
from .interaction import UserThingInteraction, InteractionState, Visibility
from .recommendation import Recommendation
from .invitation import Invitation
from .tag import Tag, TagStatus
from .social import UserProfile, Follow
from .notification import Notification, NotificationIntent, NotificationType
from .comment import Comment
from .feed import FeedThing
from .outcome import Outcome
