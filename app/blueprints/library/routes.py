"""Competency library: modules, competencies, qualifiers and their options."""
from flask import current_app, jsonify, request
from flask_login import current_user
from . import bp
from .forms import CompetencyForm, ModuleForm, QualifierForm, QualifierOptionForm
from ...extensions import db
from ...models.competency import Competency
from ...models.module import Module, ModuleQualifier
from ...models.qualifier import Qualifier, QualifierOption
from ...utils.decorators import api_login_required, skill_master_required
from ...utils.errors import ServiceError, get_scoped
from ...utils.forms import json_form, json_payload, validate_or_raise


def _bound(form_cls, obj):
    """Form over the row's current values overridden by the JSON body (PATCH)."""
    merged = obj.to_dict()
    merged.update(json_payload())
    return validate_or_raise(json_form(form_cls, merged))


def _sort_order(field):
    return field.data if field.data is not None else 0


# modules

def _check_parent(parent_id, module_id=None):
    if not parent_id:
        return None
    parent = get_scoped(Module, parent_id, current_user.org_id, "Module parent introuvable.")
    if parent.parent_id is not None:
        raise ServiceError("Un sous-module ne peut pas contenir de sous-module.")
    if module_id is not None and parent.id == module_id:
        raise ServiceError("Un module ne peut pas être son propre parent.")
    return parent.id


@bp.get("/modules")
@api_login_required
def list_modules():
    roots = (Module.query.filter_by(org_id=current_user.org_id, parent_id=None)
             .order_by(Module.sort_order, Module.code).all())
    return jsonify({"modules": [m.to_dict(with_children=True) for m in roots]})


@bp.get("/modules/<int:module_id>")
@api_login_required
def get_module(module_id):
    module = get_scoped(Module, module_id, current_user.org_id, "Module introuvable.")
    d = module.to_dict(with_children=True)
    d["competencies"] = [c.to_dict() for c in module.competencies]
    d["qualifier_ids"] = sorted(link.qualifier_id for link in module.qualifier_links)
    return jsonify({"module": d})


@bp.post("/modules")
@skill_master_required
def create_module():
    form = validate_or_raise(json_form(ModuleForm))
    module = Module(
        org_id=current_user.org_id,
        parent_id=_check_parent(form.parent_id.data),
        code=form.code.data.strip(),
        name=form.name.data.strip(),
        description=form.description.data or None,
        icon=form.icon.data or None,
        color=form.color.data or None,
        sort_order=_sort_order(form.sort_order),
        is_active=True,
        created_by=current_user.profile.id,
    )
    db.session.add(module)
    db.session.commit()
    return jsonify({"module": module.to_dict()}), 201


@bp.patch("/modules/<int:module_id>")
@skill_master_required
def update_module(module_id):
    module = get_scoped(Module, module_id, current_user.org_id, "Module introuvable.")
    form = _bound(ModuleForm, module)
    parent_id = _check_parent(form.parent_id.data, module.id)
    if parent_id and module.children:
        raise ServiceError("Un module contenant des sous-modules ne peut pas devenir un sous-module.")
    module.parent_id = parent_id
    module.code = form.code.data.strip()
    module.name = form.name.data.strip()
    module.description = form.description.data or None
    module.icon = form.icon.data or None
    module.color = form.color.data or None
    module.sort_order = _sort_order(form.sort_order)
    module.is_active = form.is_active.data
    db.session.commit()
    return jsonify({"module": module.to_dict()})


@bp.delete("/modules/<int:module_id>")
@skill_master_required
def delete_module(module_id):
    module = get_scoped(Module, module_id, current_user.org_id, "Module introuvable.")
    db.session.delete(module)
    db.session.commit()
    current_app.logger.info("module %s deleted by %s", module_id, current_user.profile.id)
    return jsonify({"success": True})


@bp.put("/modules/<int:module_id>/qualifiers")
@skill_master_required
def set_module_qualifiers(module_id):
    module = get_scoped(Module, module_id, current_user.org_id, "Module introuvable.")
    try:
        wanted = {int(q) for q in (json_payload().get("qualifier_ids") or [])}
    except (TypeError, ValueError):
        raise ServiceError("qualifier_ids invalide.")
    for qid in wanted:
        get_scoped(Qualifier, qid, current_user.org_id, "Qualificateur introuvable.")
    linked = {link.qualifier_id: link for link in module.qualifier_links}
    for qid, link in linked.items():
        if qid not in wanted:
            module.qualifier_links.remove(link)
    for qid in sorted(wanted - set(linked)):
        module.qualifier_links.append(ModuleQualifier(qualifier_id=qid))
    db.session.commit()
    return jsonify({"qualifier_ids": sorted(wanted)})


# competencies

@bp.get("/competencies")
@api_login_required
def list_competencies():
    q = Competency.query.filter_by(org_id=current_user.org_id)
    module_id = request.args.get("module_id", type=int)
    if module_id:
        q = q.filter_by(module_id=module_id)
    rows = q.order_by(Competency.module_id, Competency.sort_order, Competency.id).all()
    return jsonify({"competencies": [c.to_dict() for c in rows]})


@bp.post("/competencies")
@skill_master_required
def create_competency():
    form = validate_or_raise(json_form(CompetencyForm))
    module = get_scoped(Module, form.module_id.data, current_user.org_id, "Module introuvable.")
    comp = Competency(
        org_id=current_user.org_id,
        module_id=module.id,
        name=form.name.data.strip(),
        description=form.description.data or None,
        external_id=form.external_id.data or None,
        sort_order=_sort_order(form.sort_order),
        is_active=True,
        created_by=current_user.profile.id,
    )
    db.session.add(comp)
    db.session.commit()
    return jsonify({"competency": comp.to_dict()}), 201


@bp.patch("/competencies/<int:competency_id>")
@skill_master_required
def update_competency(competency_id):
    comp = get_scoped(Competency, competency_id, current_user.org_id, "Compétence introuvable.")
    form = _bound(CompetencyForm, comp)
    comp.module_id = get_scoped(Module, form.module_id.data, current_user.org_id, "Module introuvable.").id
    comp.name = form.name.data.strip()
    comp.description = form.description.data or None
    comp.external_id = form.external_id.data or None
    comp.sort_order = _sort_order(form.sort_order)
    comp.is_active = form.is_active.data
    db.session.commit()
    return jsonify({"competency": comp.to_dict()})


@bp.delete("/competencies/<int:competency_id>")
@skill_master_required
def delete_competency(competency_id):
    comp = get_scoped(Competency, competency_id, current_user.org_id, "Compétence introuvable.")
    db.session.delete(comp)
    db.session.commit()
    return jsonify({"success": True})


# qualifiers

@bp.get("/qualifiers")
@api_login_required
def list_qualifiers():
    rows = (Qualifier.query.filter_by(org_id=current_user.org_id)
            .order_by(Qualifier.sort_order, Qualifier.id).all())
    return jsonify({"qualifiers": [q.to_dict() for q in rows]})


@bp.get("/qualifiers/<int:qualifier_id>")
@api_login_required
def get_qualifier(qualifier_id):
    q = get_scoped(Qualifier, qualifier_id, current_user.org_id, "Qualificateur introuvable.")
    return jsonify({"qualifier": q.to_dict()})


@bp.post("/qualifiers")
@skill_master_required
def create_qualifier():
    form = validate_or_raise(json_form(QualifierForm))
    q = Qualifier(
        org_id=current_user.org_id,
        name=form.name.data.strip(),
        qualifier_type=form.qualifier_type.data,
        sort_order=_sort_order(form.sort_order),
        is_active=True,
        created_by=current_user.profile.id,
    )
    db.session.add(q)
    db.session.commit()
    return jsonify({"qualifier": q.to_dict()}), 201


@bp.patch("/qualifiers/<int:qualifier_id>")
@skill_master_required
def update_qualifier(qualifier_id):
    q = get_scoped(Qualifier, qualifier_id, current_user.org_id, "Qualificateur introuvable.")
    form = _bound(QualifierForm, q)
    q.name = form.name.data.strip()
    q.qualifier_type = form.qualifier_type.data
    q.sort_order = _sort_order(form.sort_order)
    q.is_active = form.is_active.data
    db.session.commit()
    return jsonify({"qualifier": q.to_dict()})


@bp.delete("/qualifiers/<int:qualifier_id>")
@skill_master_required
def delete_qualifier(qualifier_id):
    q = get_scoped(Qualifier, qualifier_id, current_user.org_id, "Qualificateur introuvable.")
    db.session.delete(q)
    db.session.commit()
    return jsonify({"success": True})


# qualifier options

def _scoped_option(option_id):
    option = db.session.get(QualifierOption, option_id)
    if option is None or option.qualifier.org_id != current_user.org_id:
        raise ServiceError("Option introuvable.", 404)
    return option


@bp.post("/qualifier-options")
@skill_master_required
def create_option():
    form = validate_or_raise(json_form(QualifierOptionForm))
    if form.value.data is None:
        raise ServiceError("qualifier_id, label et value sont requis.")
    q = get_scoped(Qualifier, form.qualifier_id.data, current_user.org_id, "Qualificateur introuvable.")
    option = QualifierOption(
        qualifier_id=q.id,
        label=form.label.data.strip(),
        value=form.value.data,
        icon=form.icon.data or None,
        color=form.color.data or None,
        sort_order=_sort_order(form.sort_order),
    )
    db.session.add(option)
    db.session.commit()
    return jsonify({"option": option.to_dict()}), 201


@bp.patch("/qualifier-options/<int:option_id>")
@skill_master_required
def update_option(option_id):
    option = _scoped_option(option_id)
    merged = option.to_dict()
    merged.update(json_payload())
    merged["qualifier_id"] = option.qualifier_id
    form = validate_or_raise(json_form(QualifierOptionForm, merged))
    option.label = form.label.data.strip()
    if form.value.data is not None:
        option.value = form.value.data
    option.icon = form.icon.data or None
    option.color = form.color.data or None
    option.sort_order = _sort_order(form.sort_order)
    db.session.commit()
    return jsonify({"option": option.to_dict()})


@bp.delete("/qualifier-options/<int:option_id>")
@skill_master_required
def delete_option(option_id):
    option = _scoped_option(option_id)
    db.session.delete(option)
    db.session.commit()
    return jsonify({"success": True})
