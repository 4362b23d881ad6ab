"""
Tests for the process entry point
"""

import main


class FakeServer:
    instances = []

    def __init__(self, config_path, error=None):
        self.config_path = config_path
        self.error = error
        self.stopped = False
        FakeServer.instances.append(self)

    async def start(self):
        if self.error:
            raise self.error

    async def stop(self):
        self.stopped = True


class TestMain:
    """Tests for main()"""

    async def test_clean_exit(self, monkeypatch):
        FakeServer.instances = []
        monkeypatch.setenv('CONFIG_FILE', 'custom.yaml')
        monkeypatch.setattr(main, 'OnboardingServer', FakeServer)

        assert await main.main() == 0

        server = FakeServer.instances[0]
        assert server.config_path == 'custom.yaml'
        assert server.stopped

    async def test_startup_failure(self, monkeypatch):
        FakeServer.instances = []
        monkeypatch.setattr(main, 'OnboardingServer',
                            lambda config_path: FakeServer(config_path, OSError("address in use")))

        assert await main.main() == 1
        assert FakeServer.instances[0].stopped
