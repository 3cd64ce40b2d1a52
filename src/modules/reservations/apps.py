from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.reservations"
    label = "reservations"

    def ready(self) -> None:
        from modules.reservations.events import ReservationCreated
        from modules.reservations.handlers import reservation_created_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(ReservationCreated, reservation_created_handler)
