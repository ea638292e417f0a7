import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from aiohttp import web
from notion_client import APIErrorCode, APIResponseError

from parsely.models import Instruction, Recipe

CARBONARA = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Spaghetti Carbonara",
    "description": "Roman pasta with eggs, cheese and guanciale.",
    "recipeCuisine": "Italian",
    "recipeCategory": ["Dinner", "Pasta"],
    "keywords": "pasta, quick, eggs",
    "prepTime": "PT10M",
    "cookTime": "PT15M",
    "totalTime": "PT25M",
    "recipeYield": ["4", "4 servings"],
    "recipeIngredient": [
        "400g spaghetti",
        "200g guanciale",
        "4 eggs",
        "100g pecorino romano",
        "Black pepper",
    ],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Boil the spaghetti in salted water."},
        {"@type": "HowToStep", "text": "Crisp the guanciale in a pan."},
        {"@type": "HowToStep", "text": "Whisk eggs and pecorino."},
        {"@type": "HowToStep", "text": "Toss everything off the heat."},
    ],
}

GRAPH_RECIPE = {
    "@context": "https://schema.org/",
    "@graph": [
        {"@type": "WebSite", "name": "Pasta Blog"},
        {"@type": "BreadcrumbList", "itemListElement": []},
        {
            "@type": "Recipe",
            "name": "Cacio e Pepe",
            "recipeIngredient": ["200g tonnarelli", "100g pecorino", "Pepper"],
            "recipeInstructions": "Cook pasta. Emulsify cheese with pasta water.",
        },
    ],
}

ARTICLE = {
    "@context": "https://schema.org",
    "@type": "NewsArticle",
    "headline": "The history of carbonara",
}

BLOG_HTML = """
<html>
    <head><title>Cooking blog</title></head>
    <body>
        <h1>Cooking blog</h1>
        <p>Today, let's talk about Italian cooking...</p>
    </body>
</html>
"""


def page_with(*documents, raw_blocks=()) -> str:
    """Build an HTML page embedding each document as a JSON-LD script."""
    scripts = [
        f'<script type="application/ld+json">{json.dumps(document)}</script>'
        for document in documents
    ]
    scripts.extend(f'<script type="application/ld+json">{raw}</script>' for raw in raw_blocks)
    return (
        "<html><head><title>Recipe</title>"
        + "".join(scripts)
        + "</head><body><h1>Recipe</h1></body></html>"
    )


def api_error(code=APIErrorCode.ConflictError, status=409, message="Conflict occurred while saving") -> APIResponseError:
    """Build a Notion API error as the client raises it."""
    response = httpx.Response(status, request=httpx.Request("POST", "https://api.notion.com/v1/pages"))
    return APIResponseError(response, message, code)


@pytest.fixture
def make_page():
    return page_with


@pytest.fixture
def make_api_error():
    return api_error


@pytest.fixture
def carbonara():
    return json.loads(json.dumps(CARBONARA))


@pytest.fixture
def recipe():
    return Recipe(
        name="Spaghetti Carbonara",
        ingredients=["400g spaghetti", "200g guanciale", "4 eggs"],
        instructions=[Instruction(text="Boil the pasta."), Instruction(text="Mix everything.")],
        cuisineType="Italian",
        prepTime="PT10M",
        cookTime="15 min",
        totalTime="PT25M",
        recipeYield="4",
        description="Roman pasta.",
        category="Dinner, Pasta",
        keywords=["pasta", "quick"],
        url="https://example.com/carbonara",
    )


@pytest.fixture
def notion():
    """A Notion AsyncClient double with every endpoint the store uses."""
    client = MagicMock()
    client.databases.query = AsyncMock(return_value={"results": []})
    client.pages.create = AsyncMock(return_value={"id": "page-1"})
    client.pages.update = AsyncMock(return_value={"id": "page-1"})
    client.blocks.children.list = AsyncMock(
        return_value={"results": [], "has_more": False, "next_cursor": None}
    )
    client.blocks.children.append = AsyncMock(return_value={"results": []})
    client.blocks.delete = AsyncMock(return_value={})
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def no_sleep():
    return AsyncMock()


async def serve_recipe(request):
    """Serve recipe pages by name."""
    name = request.match_info["name"]
    if name == "carbonara":
        return web.Response(text=page_with(CARBONARA), content_type="text/html")
    if name == "graph":
        return web.Response(text=page_with(ARTICLE, GRAPH_RECIPE), content_type="text/html")
    if name == "blog":
        return web.Response(text=BLOG_HTML, content_type="text/html")
    if name == "broken":
        return web.Response(status=500, text="Internal error")
    return web.Response(status=404)


@pytest.fixture
async def test_server(aiohttp_server):
    """Start a local server exposing /recipes/{name}."""
    app = web.Application()
    app.router.add_get("/recipes/{name}", serve_recipe)
    return await aiohttp_server(app)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: tests that start a local HTTP server"
    )
