"""CourseCoin API: coin rewards and wallets for the learning platform."""
