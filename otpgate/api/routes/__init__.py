"""HTTP routes for otpgate."""
