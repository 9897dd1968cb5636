"""Premium app provisioning wizard."""
