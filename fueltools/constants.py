"""Well-known locations, file names and date formats."""

FUELUP_GH_PAGES = "https://raw.githubusercontent.com/FuelLabs/fuelup/gh-pages/"
FUEL_TOOLCHAIN_TOML_FILE = "fuel-toolchain.toml"
FUELS_VERSION_FILE = "fuels_version"

CHANNEL_LATEST_URL = (
    "https://raw.githubusercontent.com/FuelLabs/fuelup/gh-pages/channel-fuel-testnet.toml"
)
CHANNEL_LATEST_FILE_NAME = "channel-fuel-testnet.toml"
CHANNEL_NIGHTLY_FILE_NAME = "channel-fuel-nightly.toml"
CHANNEL_BETA_1_FILE_NAME = "channel-fuel-beta-1.toml"
CHANNEL_BETA_2_FILE_NAME = "channel-fuel-beta-2.toml"
CHANNEL_BETA_3_FILE_NAME = "channel-fuel-beta-3.toml"
CHANNEL_BETA_4_FILE_NAME = "channel-fuel-beta-4.toml"
CHANNEL_BETA_5_FILE_NAME = "channel-fuel-beta-5.toml"
CHANNEL_DEVNET_FILE_NAME = "channel-fuel-devnet.toml"
CHANNEL_TESTNET_FILE_NAME = "channel-fuel-testnet.toml"

# strftime patterns: [year]-[month]-[day] and [year]/[month]/[day]
DATE_FORMAT = "%Y-%m-%d"
DATE_FORMAT_URL_FRIENDLY = "%Y/%m/%d"