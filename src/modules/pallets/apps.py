from django.apps import AppConfig


class PalletsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.pallets"
    label = "pallets"

    def ready(self) -> None:
        from modules.pallets.events import PalletCompleted
        from modules.pallets.handlers import pallet_completed_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(PalletCompleted, pallet_completed_handler)
