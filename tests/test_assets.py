import pytest

from fluxlang import create_document_runtime, parse_document, render_document
from fluxlang.errors import EvaluationError
from fluxlang.render import build_asset_catalog, default_asset_resolver, glob_to_regex
from fluxlang.render.assets import make_asset_id, normalize_path

ASSET_DOC = """
document {
  assets {
    asset hero { kind = image; path = "./img//hero.png"; tags = [cover]; weight = 3; meta { zeta = 1; alpha = 2; } }
    bank textures { kind = image; root = "tex"; include = "**.png"; tags = [bg]; strategy = weighted; }
  }
  materials {
    material hum { tags = [drone]; label = "Hum"; midi { pitch = 48; } }
  }
  body { page p {
    text pick { content = @assets.pick(tags = ["bg"]); }
    text none { content = @assets.pick(tags = "missing"); }
    text shuffled { content = @assets.shuffle(tags = ["bg"]); }
    text name { content = @assets.pick(tags = "cover").name; }
  } }
}
"""


def _fake_resolver(bank, cwd):
    return ["b.png", "sub/a.png"]


def _content(rendered, node_id):
    (page,) = rendered.body
    return next(child for child in page.children if child.id == node_id).props["content"]


def test_catalog_includes_definitions_banks_and_materials():
    doc = parse_document(ASSET_DOC)
    catalog = build_asset_catalog(doc, resolver=_fake_resolver)
    assert [asset.name for asset in catalog] == ["hero", "b.png", "sub/a.png", "hum"]

    hero, bank_b, bank_a, hum = catalog
    assert hero.path == "img/hero.png"
    assert hero.weight == 3
    assert list(hero.meta) == ["alpha", "zeta"]
    assert hero.id == make_asset_id("asset", "hero", "image", "img/hero.png")
    assert hero.id.startswith("asset_") and len(hero.id) == len("asset_") + 8

    assert bank_a.path == "tex/sub/a.png"
    assert bank_a.tags == ["bg"]
    assert bank_a.strategy == "weighted"
    assert bank_a.id.startswith("bank_")

    assert hum.kind == "material"
    assert hum.meta["midi"] == {"pitch": 48}
    assert hum.meta["label"] == "Hum"


def test_rendered_assets_are_sorted_by_id():
    rendered = render_document(parse_document(ASSET_DOC), asset_resolver=_fake_resolver)
    ids = [asset.id for asset in rendered.assets]
    assert ids == sorted(ids)
    hero = next(asset for asset in rendered.assets if asset.name == "hero")
    assert hero.source.type == "asset"
    assert hero.model_dump(by_alias=True)["source"] == {"type": "asset", "name": "hero"}


def test_pick_and_shuffle_return_asset_refs():
    rendered = render_document(parse_document(ASSET_DOC), asset_resolver=_fake_resolver, seed=5)
    picked = _content(rendered, "pick")
    assert picked["kind"] == "asset"
    assert picked["assetKind"] == "image"
    assert picked["path"] in {"tex/b.png", "tex/sub/a.png"}

    assert _content(rendered, "none") is None

    shuffled = _content(rendered, "shuffled")
    assert sorted(ref["path"] for ref in shuffled) == ["tex/b.png", "tex/sub/a.png"]
    assert _content(rendered, "name") == "hero"


def test_pick_is_deterministic_per_seed():
    doc = parse_document(ASSET_DOC)
    first = render_document(doc, asset_resolver=_fake_resolver, seed=9)
    second = render_document(doc, asset_resolver=_fake_resolver, seed=9)
    assert _content(first, "pick") == _content(second, "pick")


def test_unknown_pick_strategy_is_an_error():
    doc = parse_document(
        'document { body { page p { text t { content = @assets.pick(tags = "x", strategy = "loudest"); } } } }'
    )
    with pytest.raises(EvaluationError, match="Unknown asset pick strategy 'loudest'"):
        render_document(doc)


def test_no_repeat_steps_pick_is_reproducible():
    doc = parse_document(
        """
        document {
          assets {
            asset one { kind = image; path = "1.png"; tags = [deck]; }
            asset two { kind = image; path = "2.png"; tags = [deck]; }
            asset three { kind = image; path = "3.png"; tags = [deck]; }
          }
          body { page p { slot s { refresh = docstep;
            text t { content = @assets.pick(tags = "deck", noRepeatSteps = 1).name; }
          } } }
        }
        """
    )
    names = _names(create_document_runtime(doc, seed=1))
    assert all(name in {"one", "two", "three"} for name in names)
    assert _names(create_document_runtime(doc, seed=1)) == names


def _names(runtime, steps=5):
    rendered = [runtime.render()] + [runtime.step() for _ in range(steps)]
    return [doc.body[0].children[0].children[0].props["content"] for doc in rendered]


def test_glob_to_regex():
    nested = glob_to_regex("**/*.png")
    assert nested.match("sub/a.png")
    assert nested.match("a/b/c.png")
    assert not nested.match("a.png")
    assert not nested.match("sub/a.jpg")

    flat = glob_to_regex("*.png")
    assert flat.match("a.png")
    assert not flat.match("sub/a.png")

    single = glob_to_regex("img?.(v1).png")
    assert single.match("img1.(v1).png")
    assert not single.match("img10.(v1).png")


def test_normalize_path():
    assert normalize_path("./a//b/c.png") == "a/b/c.png"
    assert normalize_path(None) == ""


def test_default_resolver_walks_the_bank_root(tmp_path):
    root = tmp_path / "tex"
    (root / "sub").mkdir(parents=True)
    (root / "a.png").write_text("a")
    (root / "sub" / "b.png").write_text("b")
    (root / "notes.txt").write_text("n")

    doc = parse_document('document { assets { bank t { kind = image; root = "tex"; include = "**.png"; } } }')
    (bank,) = doc.assets.banks
    assert default_asset_resolver(bank, str(tmp_path)) == ["a.png", "sub/b.png"]

    catalog = build_asset_catalog(doc, cwd=str(tmp_path))
    assert [asset.path for asset in catalog] == ["tex/a.png", "tex/sub/b.png"]


def test_default_resolver_tolerates_missing_root(tmp_path):
    doc = parse_document('document { assets { bank t { root = "absent"; include = "*"; } } }')
    assert build_asset_catalog(doc, cwd=str(tmp_path)) == []


def test_asset_cwd_from_environment(tmp_path, monkeypatch):
    (tmp_path / "tex").mkdir()
    (tmp_path / "tex" / "only.png").write_text("x")
    monkeypatch.setenv("FLUX_ASSET_CWD", str(tmp_path))
    doc = parse_document('document { assets { bank t { kind = image; root = "tex"; include = "*.png"; } } }')
    rendered = render_document(doc)
    assert [asset.path for asset in rendered.assets] == ["tex/only.png"]
