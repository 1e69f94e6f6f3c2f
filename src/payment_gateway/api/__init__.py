"""HTTP surface for the payment gateway."""
