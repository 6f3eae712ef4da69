# =============================================================================
# Network Worker
# =============================================================================
# Provisions and deletes VPC subnets on AWS in response to bus messages.
# =============================================================================
