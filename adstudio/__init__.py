"""AdStudio: multi-asset commercial image generation over a tiered image provider."""
