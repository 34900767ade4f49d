"""
Sample page fixtures for testing.
"""

# Well-formed page - passes every structural and technical check
WELL_FORMED_PAGE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Example Widgets - Durable Tools for Every Home</title>
    <meta name="description" content="Learn how Example Widgets builds durable hand tools for every home, from hammers to wrenches, with free shipping and a lifetime warranty on orders.">
    <link rel="icon" href="/favicon-32.png" sizes="32x32">
    <link rel="apple-touch-icon" href="/apple-touch-icon.png">

    <!-- Open Graph -->
    <meta property="og:title" content="Example Widgets">
    <meta property="og:description" content="Durable hand tools for every home.">
    <meta property="og:image" content="https://example.com/og-image.jpg">
    <meta property="og:image:width" content="1200">
    <meta property="og:image:height" content="630">
    <meta property="og:image:alt" content="A row of Example Widgets hand tools">
    <meta property="og:url" content="https://example.com/">
    <meta property="og:type" content="website">
    <meta property="og:site_name" content="Example Widgets">
    <meta property="og:locale" content="en_US">

    <!-- Twitter Card -->
    <meta name="twitter:card" content="summary_large_image">
    <meta name="twitter:title" content="Example Widgets">
    <meta name="twitter:description" content="Durable hand tools for every home.">
    <meta name="twitter:image" content="https://example.com/twitter-image.jpg">
    <meta name="twitter:image:alt" content="A row of Example Widgets hand tools">
    <meta name="twitter:site" content="@examplewidgets">
    <meta name="twitter:creator" content="@examplewidgets">

    <style>
        body { margin: 0; }
        @media (max-width: 600px) { body { font-size: 18px; } }
    </style>
</head>
<body>
    <header>
        <nav>
            <a href="/">Home</a>
            <a href="/about">About Us</a>
        </nav>
    </header>

    <main>
        <h1>Durable Tools for Every Home</h1>
        <p>Our hammers are forged from a single piece of steel. They last for years.</p>

        <h2>Why Steel Matters</h2>
        <p>Steel handles do not crack in cold weather. Wooden handles often do.</p>
        <img src="/hammer.jpg" alt="Forged steel hammer">

        <h2>Care and Maintenance</h2>
        <h3>Cleaning</h3>
        <p>Wipe each tool after use. Store them in a dry place.</p>
        <img src="/wrench.jpg" alt="Adjustable wrench">

        <p>Read more on <a href="https://en.wikipedia.org/wiki/Hammer">the history of the hammer</a>.</p>
    </main>

    <footer>
        <p>Copyright Example Widgets</p>
    </footer>
</body>
</html>
"""

# Poor page - triggers most penalties
POOR_PAGE_HTML = """<html>
<head>
</head>
<body>
    <h2>Products</h2>
    <h4>Hammers</h4>
    <img src="/a.jpg">
    <img src="/b.jpg" alt="">
    <div id="main"><div id="main">Buy now</div></div>
    <p style="font-size: 9px">small print</p>
</body>
</html>
"""

ROBOTS_TXT = """User-agent: *
Disallow: /admin/

Sitemap: https://example.com/sitemap.xml
"""

SITEMAP_XML = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
    <url><loc>https://example.com/</loc></url>
    <url><loc>https://example.com/about</loc></url>
</urlset>
"""

PAGESPEED_RESPONSE = {
    "lighthouseResult": {
        "categories": {"performance": {"score": 0.875}},
        "audits": {
            "interactive": {"numericValue": 3456.7},
            "first-contentful-paint": {"numericValue": 1200.2},
            "largest-contentful-paint": {"numericValue": 2500.9},
            "total-blocking-time": {"numericValue": 150.4},
            "cumulative-layout-shift": {"numericValue": 0.12345},
            "render-blocking-resources": {
                "score": 0.5,
                "title": "Eliminate render-blocking resources",
                "displayValue": "Potential savings of 450 ms",
            },
            "uses-text-compression": {
                "score": 0.2,
                "title": "Enable text compression",
                "description": "Text-based resources should be served with compression.",
            },
            "viewport": {"score": 1, "title": "Has a viewport meta tag"},
            "screenshot-thumbnails": {"score": None, "title": "Screenshot Thumbnails"},
        },
    }
}
