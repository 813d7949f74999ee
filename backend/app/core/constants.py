"""
Centralized constants for the webhook, the scheduled job and the push message.

Change topic names, field names or slot arithmetic here instead of scattering
literals across services and routes.
"""

# Scheduler job id (must match the id used in main.py add_job)
SCHEDULED_PUSH_JOB_ID = "scheduled_push"

# Contentful webhook: only this topic triggers processing
CONTENTFUL_TOPIC_HEADER = "X-Contentful-Topic"
CONTENTFUL_PUBLISH_TOPIC = "ContentManagement.Entry.publish"
# Management-API payloads nest every field value under a locale code; only this one is read
CONTENTFUL_LOCALE = "en-US"

# Entry field ids on the notifiable content type
FIELD_TITLE = "title"
FIELD_ARCHITECT = "architect"
FIELD_SEND_NOTIFICATION = "sendNotification"
FIELD_CATEGORIES = "categories"
FIELD_CASE_NUMBER = "caseNumber"
FIELD_SLUG = "slug"

DEFAULT_WEBHOOK_TITLE = "New Project"
DEFAULT_DELIVERY_TITLE = "Untitled Project"

# Push message
PUSH_TITLE = "New Project Published"
PUSH_SOUND = "default"
PUSH_BADGE = 1
PUSH_SCREEN = "daily"  # client-side navigation target

# Scheduled slots: minute rounded to the nearest quarter hour, recipients matched within ±7
SLOT_MINUTES = 15
SLOT_TOLERANCE_MINUTES = 7
