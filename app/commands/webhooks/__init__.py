from app.commands.webhooks.process_events_command import ProcessWebhookEventsCommand

__all__ = ["ProcessWebhookEventsCommand"]
