from django.conf import settings
from django.contrib.staticfiles.management.commands.runserver import Command as StaticfilesRunserverCommand


class Command(StaticfilesRunserverCommand):
    help = "Starts the relay on settings.PORT unless an address is given."

    @property
    def default_port(self):
        return str(settings.PORT)
