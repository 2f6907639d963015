"""
Navigation routes: tabs, dropdown items and table configs
"""
import logging
from flask import Blueprint, jsonify

from routes import get_store, json_body, no_cache
from utils.errors import NotFoundError
from utils.patches import DropdownItemPatch, TabPatch, TableConfigPatch

navigation = Blueprint('navigation', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

def _listing(items):
    return no_cache(jsonify([item.to_dict() for item in items]))

# Navigation tabs

@navigation.route('/navigation-tabs', methods=['GET'])
def list_tabs():
    return _listing(get_store().get_all_tabs())

@navigation.route('/navigation-tabs/active', methods=['GET'])
def list_active_tabs():
    return _listing(get_store().get_active_tabs())

@navigation.route('/navigation-tabs', methods=['POST'])
def create_tab():
    patch = TabPatch.from_dict(json_body()).require('name')
    tab = get_store().create_tab(patch.name, patch.display_name,
                                 patch.order if patch.order is not None else 0)
    return jsonify(tab.to_dict()), 201

@navigation.route('/navigation-tabs/<int:tab_id>', methods=['GET'])
def get_tab(tab_id):
    return jsonify(get_store().get_tab(tab_id).to_dict())

@navigation.route('/navigation-tabs/<int:tab_id>', methods=['PATCH'])
def update_tab(tab_id):
    tab = get_store().update_tab(tab_id, TabPatch.from_dict(json_body()))
    return jsonify(tab.to_dict())

@navigation.route('/navigation-tabs/<int:tab_id>', methods=['DELETE'])
def delete_tab(tab_id):
    result = get_store().delete_tab(tab_id)
    logger.debug(f"Tab {tab_id} cascade: {result.to_dict()}")
    return jsonify(result.to_dict())

# Dropdown items

@navigation.route('/dropdown-items', methods=['GET'])
def list_dropdown_items():
    return _listing(get_store().get_all_dropdown_items())

@navigation.route('/dropdown-items/tab/<int:tab_id>', methods=['GET'])
def list_dropdown_items_by_tab(tab_id):
    return _listing(get_store().get_dropdown_items_by_tab(tab_id))

@navigation.route('/dropdown-items', methods=['POST'])
def create_dropdown_item():
    patch = DropdownItemPatch.from_dict(json_body()).require('tab_id', 'name')
    item = get_store().create_dropdown_item(patch.tab_id, patch.name, patch.display_name,
                                            patch.order if patch.order is not None else 0)
    return jsonify(item.to_dict()), 201

@navigation.route('/dropdown-items/<int:item_id>', methods=['PATCH'])
def update_dropdown_item(item_id):
    item = get_store().update_dropdown_item(item_id, DropdownItemPatch.from_dict(json_body()))
    return jsonify(item.to_dict())

@navigation.route('/dropdown-items/<int:item_id>', methods=['DELETE'])
def delete_dropdown_item(item_id):
    result = get_store().delete_dropdown_item(item_id)
    logger.debug(f"Dropdown item {item_id} cascade: {result.to_dict()}")
    return jsonify(result.to_dict())

# Table configs

@navigation.route('/table-configs', methods=['GET'])
def list_table_configs():
    return _listing(get_store().get_all_table_configs())

@navigation.route('/table-configs/dropdown/<int:dropdown_id>', methods=['GET'])
def list_table_configs_by_dropdown(dropdown_id):
    return _listing(get_store().get_table_configs_by_dropdown(dropdown_id))

@navigation.route('/table-configs', methods=['POST'])
def create_table_config():
    patch = TableConfigPatch.from_dict(json_body()).require('tab_id', 'dropdown_id', 'table_name')
    config = get_store().create_table_config(patch.tab_id, patch.dropdown_id, patch.table_name,
                                             patch.display_name,
                                             patch.order if patch.order is not None else 0)
    return jsonify(config.to_dict()), 201

@navigation.route('/table-configs/<int:config_id>', methods=['PATCH'])
def update_table_config(config_id):
    config = get_store().update_table_config(config_id, TableConfigPatch.from_dict(json_body()))
    return jsonify(config.to_dict())

@navigation.route('/table-configs/<int:config_id>', methods=['DELETE'])
def delete_table_config(config_id):
    if not get_store().delete_table_config(config_id):
        raise NotFoundError(f"Table config {config_id} not found")
    return '', 204
