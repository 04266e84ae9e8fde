"""Assets and materials catalog declarations."""

from __future__ import annotations

from typing import Any, Dict, List

from ... import ast_nodes

__all__ = [
    "parse_assets_block",
    "parse_asset_decl",
    "parse_asset_bank_decl",
    "parse_meta_map_block",
    "parse_materials_block",
    "parse_material_decl",
]


def _parse_word_field(self, name: str) -> str:
    """`name = ident` or `name = "string"`."""
    self.advance()
    self.consume("EQUALS", message=f"Expected '=' after '{name}'")
    token = self.peek()
    if token.type not in {"IDENT", "STRING"}:
        raise self.error(f"Expected {name} identifier or string", token)
    self.advance()
    self.end_field()
    return token.value or ""


def parse_assets_block(self) -> ast_nodes.AssetsBlock:
    self.expect_ident("assets", "Expected 'assets'")
    self.consume("LBRACE", message="Expected '{' after 'assets'")
    block = ast_nodes.AssetsBlock()
    while not self.at_block_end():
        if self.check_ident("asset"):
            block.assets.append(self.parse_asset_decl())
        elif self.check_ident("bank"):
            block.banks.append(self.parse_asset_bank_decl())
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after assets block")
    return block


def parse_asset_decl(self) -> ast_nodes.AssetDefinition:
    start = self.expect_ident("asset", "Expected 'asset'")
    name_tok = self.consume("IDENT", message="Expected asset name")
    self.consume("LBRACE", message="Expected '{' after asset name")
    asset = ast_nodes.AssetDefinition(name=name_tok.value, span=self._span(start))
    while not self.at_block_end():
        if self.check_ident("kind"):
            asset.kind = _parse_word_field(self, "kind")
        elif self.check_ident("path"):
            asset.path = self.parse_string_field("path")
        elif self.check_ident("tags"):
            asset.tags = self.parse_identifier_list()
        elif self.check_ident("weight"):
            asset.weight = self.parse_number_field("weight")
        elif self.check_ident("meta"):
            asset.meta = self.parse_meta_map_block()
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after asset block")
    return asset


def parse_asset_bank_decl(self) -> ast_nodes.AssetBank:
    start = self.expect_ident("bank", "Expected 'bank'")
    name_tok = self.consume("IDENT", message="Expected bank name")
    self.consume("LBRACE", message="Expected '{' after bank name")
    bank = ast_nodes.AssetBank(name=name_tok.value, span=self._span(start))
    while not self.at_block_end():
        if self.check_ident("kind"):
            bank.kind = _parse_word_field(self, "kind")
        elif self.check_ident("root"):
            bank.root = self.parse_string_field("root")
        elif self.check_ident("include"):
            bank.include = self.parse_string_field("include")
        elif self.check_ident("tags"):
            bank.tags = self.parse_identifier_list()
        elif self.check_ident("strategy"):
            strategy_tok = self.peek_offset(2)
            strategy = _parse_word_field(self, "strategy")
            if strategy not in ast_nodes.ASSET_STRATEGIES:
                raise self.error(f"Unknown asset strategy '{strategy}'", strategy_tok)
            bank.strategy = strategy
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after bank block")
    return bank


def parse_meta_map_block(self) -> Dict[str, Any]:
    self.expect_ident("meta", "Expected 'meta'")
    self.consume("LBRACE", message="Expected '{' after 'meta'")
    meta: Dict[str, Any] = {}
    while not self.at_block_end():
        key = self.parse_key_path("Expected meta field name")
        self.consume("EQUALS", message="Expected '=' after meta field name")
        meta[key] = self.parse_value_literal()
        self.end_field()
    self.consume("RBRACE", message="Expected '}' after meta block")
    return meta


def parse_materials_block(self) -> ast_nodes.MaterialsBlock:
    self.expect_ident("materials", "Expected 'materials'")
    self.consume("LBRACE", message="Expected '{' after 'materials'")
    materials: List[ast_nodes.Material] = []
    while not self.at_block_end():
        if self.check_ident("material"):
            materials.append(self.parse_material_decl())
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after materials block")
    return ast_nodes.MaterialsBlock(materials=materials)


def parse_material_decl(self) -> ast_nodes.Material:
    start = self.expect_ident("material", "Expected 'material'")
    name_tok = self.consume("IDENT", message="Expected material name")
    self.consume("LBRACE", message="Expected '{' after material name")
    material = ast_nodes.Material(name=name_tok.value, span=self._span(start))
    while not self.at_block_end():
        if self.check_ident("tags"):
            material.tags = self.parse_identifier_list()
        elif self.check_ident("label"):
            material.label = self.parse_string_field("label")
        elif self.check_ident("description"):
            material.description = self.parse_string_field("description")
        elif self.check_ident("color"):
            material.color = self.parse_string_field("color")
        elif self.check_ident("score"):
            material.score = _parse_score_block(self)
        elif self.check_ident("midi"):
            material.midi = _parse_midi_block(self)
        elif self.check_ident("video"):
            material.video = _parse_video_block(self)
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after material block")
    return material


def _open_payload(self, name: str) -> None:
    self.expect_ident(name, f"Expected '{name}'")
    self.consume("LBRACE", message=f"Expected '{{' after '{name}'")


def _parse_score_block(self) -> ast_nodes.MaterialScore:
    _open_payload(self, "score")
    score = ast_nodes.MaterialScore()
    while not self.at_block_end():
        if self.check_ident("text"):
            score.text = self.parse_string_field("text")
        elif self.check_ident("staff"):
            score.staff = self.parse_string_field("staff")
        elif self.check_ident("clef"):
            score.clef = self.parse_string_field("clef")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after score block")
    return score


def _parse_midi_block(self) -> ast_nodes.MaterialMidi:
    _open_payload(self, "midi")
    midi = ast_nodes.MaterialMidi()
    while not self.at_block_end():
        if self.check_ident("channel"):
            midi.channel = self.parse_number_field("channel")
        elif self.check_ident("pitch"):
            midi.pitch = self.parse_number_field("pitch")
        elif self.check_ident("velocity"):
            midi.velocity = self.parse_number_field("velocity")
        elif self.check_ident("durationSeconds"):
            midi.duration_seconds = self.parse_number_field("durationSeconds")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after midi block")
    return midi


def _parse_video_block(self) -> ast_nodes.MaterialVideo:
    _open_payload(self, "video")
    video = ast_nodes.MaterialVideo()
    while not self.at_block_end():
        if self.check_ident("clip"):
            video.clip = self.parse_string_field("clip")
        elif self.check_ident("inSeconds"):
            video.in_seconds = self.parse_number_field("inSeconds")
        elif self.check_ident("outSeconds"):
            video.out_seconds = self.parse_number_field("outSeconds")
        elif self.check_ident("layer"):
            video.layer = self.parse_string_field("layer")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after video block")
    return video
