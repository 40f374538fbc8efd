from prometheus_client import Counter, Gauge

TEAMS_CREATED_TOTAL = Counter(
    "teamhub_teams_created_total",
    "Number of teams created",
)

USERS_CREATED_TOTAL = Counter(
    "teamhub_users_created_total",
    "Number of user accounts created by admins",
)

CONVERSATIONS_CREATED_TOTAL = Counter(
    "teamhub_conversations_created_total",
    "Number of conversations created",
    ["type"],  # direct | group | team_announcement
)

MESSAGES_SENT_TOTAL = Counter(
    "teamhub_messages_sent_total",
    "Number of messages posted into conversations",
)

SCHEDULE_EVENTS_CREATED_TOTAL = Counter(
    "teamhub_schedule_events_created_total",
    "Number of calendar events created",
    ["event_type"],
)

ASSIGNMENTS_CREATED_TOTAL = Counter(
    "teamhub_assignments_created_total",
    "Number of program or plan assignments created",
    ["kind", "scope"],  # kind: training_program | meal_plan, scope: team | player
)

ARTICLE_OPENS_TOTAL = Counter(
    "teamhub_article_opens_total",
    "Number of knowledge article opens",
)

ASSISTANT_REQUESTS_TOTAL = Counter(
    "teamhub_assistant_requests_total",
    "Number of AI assistant completions requested",
    ["outcome"],  # ok | error
)

UPLOADS_TOTAL = Counter(
    "teamhub_uploads_total",
    "Number of objects uploaded to storage",
    ["bucket"],
)

REALTIME_EVENTS_PUBLISHED_TOTAL = Counter(
    "teamhub_realtime_events_published_total",
    "Number of change events published to the realtime feed",
    ["table", "action"],
)

REALTIME_SUBSCRIPTIONS_ACTIVE = Gauge(
    "teamhub_realtime_subscriptions_active",
    "Number of open change-feed subscriptions",
)
